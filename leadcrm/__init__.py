"""
Lead CRM kept in a Google spreadsheet.

Connect with leadcrm.crm.connection.open_tracking_sheet() (creates or
migrates the document) or get_crm_connection() (read-only use), then call
the functions in leadcrm.crm.operations.
"""
__version__ = '0.1.0'
