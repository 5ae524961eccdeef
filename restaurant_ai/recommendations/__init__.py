"""
Menu recommendation engine.

Responsibilities:
- Accept customer preferences (dietary flags, allergies, spice, price,
  category, ingredients).
- Translate them into a catalog filter, relaxing once when nothing matches.
- Re-rank candidates against the customer's order history.
- Enrich specials and answers with LLM text, falling back quietly.
"""
