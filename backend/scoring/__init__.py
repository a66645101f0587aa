"""
Value-for-money scoring layer.

Responsibilities:
- Keep the most recent score per restaurant in a result store.
- Serve fresh scores straight from the store.
- Make sure only one LLM scoring run is in flight per restaurant.
- Record finished scores and always clear in-flight state afterwards.
"""
