"""Request throttling backed by memory or Redis."""
