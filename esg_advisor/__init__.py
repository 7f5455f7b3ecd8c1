"""ESG portfolio advisor chat core."""
