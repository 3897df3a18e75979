"""
KDS REST API: station tickets, order fan-out and reconciliation.
"""
