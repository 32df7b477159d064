"""
nodedns

Node identity registration with DNS publication, and alias reconciliation.
"""
