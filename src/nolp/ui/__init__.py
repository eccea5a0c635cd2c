"""Terminal user interface: screens, key handling and rendering."""
