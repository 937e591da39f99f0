"""Cast mirror: syncs a Farcaster channel feed into a key-value store with local voting."""

__version__ = "0.1.0"
