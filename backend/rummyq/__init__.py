"""RummyQ host: live waiting queue and card tables."""

__version__ = "1.0.0"
