"""User administration: listing, editing, banning and deleting accounts."""
