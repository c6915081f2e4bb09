"""
Booking sources for ledgercheck.

Raw rows from ledger exports or an analytical database are coerced into
Booking records here before they reach the detectors.
"""
