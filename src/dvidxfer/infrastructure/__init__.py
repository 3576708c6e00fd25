"""Infrastructure layer — HTTP access to DVID nodes."""
