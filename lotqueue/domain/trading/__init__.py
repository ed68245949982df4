"""
Trading bounded context: domain layer.

This module contains all domain logic for the trading context:
- Package pricing and daily limits
- Trade eligibility (referral gate, balance, daily cap)
- Autofill pool split policy
- Ledger ports and domain errors
"""
