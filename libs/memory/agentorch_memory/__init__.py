"""Scoped, expiring key/value memory shared by agents."""
