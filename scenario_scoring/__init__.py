"""Historical analog scenario scoring service."""
