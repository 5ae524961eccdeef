"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Rewrite dish descriptions from their ingredient lists.
- Answer free-form menu questions against a catalog context summary.
- Report every call as an explicit outcome, falling back to the original
  text or a fixed message when the LLM is unavailable or misbehaves.
"""
