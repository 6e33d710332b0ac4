"""
Sensor Readings Backend
=======================

This is the Python package for the backend API.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a reading look like?)
- services/  = Workers (MongoDB access, CSV ingestion)
- routers/   = API endpoints (the doors into our app)
- utils/     = Small parsing/validation helpers
- errors.py  = The errors we send back as {"error", "message"}
- config.py  = Settings from environment variables / .env
- main.py    = Puts it all together and starts the server
"""
