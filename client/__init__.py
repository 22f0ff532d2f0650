"""
Monopoly online client

Reconciles the authoritative game stream with local piece/dice animation,
sounds and toasts. See client.reconciler for the event dispositions.
"""

__version__ = "0.1.0"
