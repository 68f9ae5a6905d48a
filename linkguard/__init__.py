"""LinkGuard: channel link-health scanning engine."""

__version__ = "0.1.0"
