"""CoastWatch HTTP API."""
