"""
Crowdfunding platform backend.

Users register and authenticate with bearer tokens, create campaigns with
images, and back campaigns through Midtrans Snap payments.
"""

__version__ = "1.0.0"
