"""smswatch — live SMS watcher with OTP extraction and two-tier classification."""

__version__ = '1.0.0'
