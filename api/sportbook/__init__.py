"""SportBook: court booking API."""
