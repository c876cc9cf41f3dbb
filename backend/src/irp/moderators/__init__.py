"""Moderator records and the get-or-create directory."""
