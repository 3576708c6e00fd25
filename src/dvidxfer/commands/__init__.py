"""Click plumbing shared by the dvidxfer entry point."""
