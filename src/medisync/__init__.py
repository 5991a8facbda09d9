"""
MediSync - Resumable patient record synchroniser for the MediOnline portal.

Walks the portal's patient search results page by page, scrapes each
patient's details, appointments and invoices, and reconciles them into a
local relational store.
"""

__version__ = "0.1.0"
__app_name__ = "medisync"
