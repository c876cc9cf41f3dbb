"""Report lifecycle: persistence, projection and the assignment workflow."""
