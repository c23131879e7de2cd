"""Third-party API integrations."""
