"""Shared identifiers for the ticket inventory tests"""

EVENT_ID = 7
BUYER_ID = 42
