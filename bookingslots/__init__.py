"""
bookingslots - Appointment availability for the agency booking form and CRM.
"""

__version__ = "0.1.0"
