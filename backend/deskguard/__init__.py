"""DeskGuard: role & permission authorization engine."""
