"""Prompt templates for the scenario analyzer.

PROMPT_VERSION is logged with every analysis call; bump it on any prompt
change so drafts can be traced to the wording that produced them.
"""

PROMPT_VERSION = "scenario_v2"
