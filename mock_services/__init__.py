"""Local stand-ins for the external services the checkout service talks to."""
