"""
AirGradient Bridge
==================

Takes readings pushed by AirGradient air quality sensors, keeps the latest
one, and serves it to Prometheus.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a reading look like?)
- services/  = The cache, the backup file and the ingest/render logic
- routers/   = API endpoints
- auth.py    = Optional basic auth for the public listener
- config.py  = Environment variables
- main.py    = Puts it all together and starts the servers
"""

__version__ = "1.0.0"
