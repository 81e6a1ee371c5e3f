"""HTTP API for Storybook Rank."""
