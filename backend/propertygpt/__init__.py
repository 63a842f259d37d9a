"""
PropertyGPT - anticipatory real estate assistant core.

Market analysis derivation and conversational intent routing.
"""

__version__ = "1.0.0"
