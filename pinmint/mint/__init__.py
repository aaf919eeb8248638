"""The pin-then-mint pipeline."""
