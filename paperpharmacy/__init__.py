"""Paper Pharmacy: mood-based book recommendations."""
