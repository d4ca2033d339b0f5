"""
Business listing feeds.

Responsibilities:
- Parse listing query parameters into shared filters.
- Retrieve and score the personal, top-rated and explore candidate buckets.
- Blend buckets under per-topic diversity caps and apply dealbreakers.
- Surface the caller's recently reviewed businesses first.
- Map candidates to the card shape the UI renders.
"""
