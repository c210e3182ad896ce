"""Time tracking and hours accounting backend."""
