"""
Chat layer of the ESG advisor.

Directive parsing, action validation and execution, portfolio tools and
the tool-calling orchestrator.
"""
