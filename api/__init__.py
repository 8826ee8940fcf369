"""api/ -- FastAPI application factory, routes and HTTP error envelopes."""
