"""Blog posts: CRUD, slugs, listings and view counting."""
