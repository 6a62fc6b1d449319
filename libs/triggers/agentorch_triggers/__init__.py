"""Status-change triggers that start agent chains."""
