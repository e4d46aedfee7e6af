"""Live patching: trigger bindings and swap application."""
