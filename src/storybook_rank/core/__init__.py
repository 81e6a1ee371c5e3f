"""Core configuration for Storybook Rank."""
