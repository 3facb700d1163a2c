"""netpresence - network device presence monitor."""

__version__ = "0.1.0"
