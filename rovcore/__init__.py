"""Vehicle-control core: sensor fusion, remote command debouncing and thruster mixing."""
