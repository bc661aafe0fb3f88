"""
Student / Driver Verification Pipeline

This package contains the client side of document verification:
- Canonical status tiers for backend status strings
- Driver-after-student eligibility gate
- Two-pass JPEG normalization of document photos
- Document slot tracking and submission to the verification authority
"""

__version__ = "1.0.0"
