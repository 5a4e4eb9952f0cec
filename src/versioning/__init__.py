"""Version spec parsing and resolution."""
