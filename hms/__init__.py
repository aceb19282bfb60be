"""
Clinic records backend (HMS).

Structure:
- config.py       : environment settings (dotenv) and logging setup
- csv_store.py    : CSV read / append / rewrite
- models.py       : entity records (one per CSV file)
- repositories.py : CSV-backed in-memory repositories
- roles.py        : roles and per-role panel visibility
- login.py        : identifier -> identity resolution
- db.py           : SQLAlchemy engine and sessions (accounts)
- auth_*.py       : accounts, password hashing, JWT
- services.py     : panel use cases (patients, staff, appointments, records)
- documents.py    : prescription files and referral letters
- seed.py         : sample CSV dataset
- cli.py          : command line front end
- api_main.py     : REST API used by the Streamlit dashboard
- tools/          : maintenance scripts (reference check, account reset, paths)
"""
