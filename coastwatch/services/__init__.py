"""CoastWatch Services Layer."""
