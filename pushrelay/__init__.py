"""
pushrelay
Push notification delivery with retry, backoff and multicast reconciliation.
"""
