"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build the value-for-money prompt from a restaurant's reviews.
- Call the Groq LLM and parse its compareFun / aiComment answer.
- Report every failure as a ScorerError so callers can clean up.
"""
