"""Blockchain access: endpoints, submission, receipts and events."""
