"""Game domain services: ledger, settlement, punishment and session phases.

This package contains pure(ish) domain logic used by the coordinator,
keeping transport concerns separated from core game mechanics.
"""
