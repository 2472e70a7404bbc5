"""Library Desk - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Loan workflow and session state (library.py)
- CLI interface (main.py)
- Data models (book.py, borrow_record.py)
- In-memory stores (catalog.py, ledger.py)
"""

__version__ = "1.0.0"
