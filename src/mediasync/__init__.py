"""mediasync - reconcile requested-media cards with the media catalog."""

__version__ = "0.1.0"
