"""Account, billing and notification layer of the AI Property Appraiser."""
