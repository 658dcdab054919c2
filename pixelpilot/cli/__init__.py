"""Terminal front-end for Pixel Pilot."""
