"""Data access modules."""
