"""git-commit-props test suite."""
