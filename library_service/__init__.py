"""Library Service: document library backend (users, uploaded files, cover images)."""
