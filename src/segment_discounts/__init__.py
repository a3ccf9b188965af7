"""
Segment Discounts Package

Resolves which percentage discount applies to a shopper from their customer
segment and collection-scoped discount plans, and turns it into priced draft
order lines.
"""

__version__ = "1.0.0"
