"""Threaded comments on posts: top-level comments, replies, edits and deletes."""
