"""api/ -- FastAPI transport layer. Imports from auth/, notify/ and core/; nothing imports api/."""
