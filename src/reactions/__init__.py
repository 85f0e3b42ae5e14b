"""Post reactions: one reaction per user and post, with toggle semantics."""
