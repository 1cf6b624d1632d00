"""
Lead Sync Module - GoHighLevel → Structurely → GoHighLevel

Pushes GHL contacts to Structurely as leads and writes the AI enrichment
back into GHL custom fields on a fixed interval.
"""

__version__ = "0.1.0"
