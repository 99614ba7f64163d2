"""
ResQlink Dashboard Backend
==========================

Backend API for the ResQlink landslide early-warning admin dashboard.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a sensor reading look like?)
- services/  = Workers (read tables, follow change feeds, call weather/alerts)
- routers/   = API endpoints (one file per dashboard widget)
- utils/     = Input validation
- main.py    = Puts it all together and starts the server

Author: ResQlink Team
"""
