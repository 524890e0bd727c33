"""Casbin rule codec, filter conditions and the database adapter."""
