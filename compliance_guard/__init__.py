"""
FAR Compliance Guard - usage-limit admission and upload security for the
FAR contract compliance dashboard.

This package provides the policy core behind document uploads and metered
actions: subscription-tier usage limits, trial tracking, file validation and
content scanning, plus a FastAPI surface for the dashboard to call.
"""

__version__ = "1.0.0"
