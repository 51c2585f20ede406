"""predhub command line."""
