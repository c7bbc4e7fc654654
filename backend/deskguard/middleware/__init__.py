"""Exception handling for the FastAPI app."""
