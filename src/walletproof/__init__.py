"""walletproof: prove wallet ownership with a one-time micro-payment."""

__version__ = "1.0.0"
