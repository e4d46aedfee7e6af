"""Scene documents: element trees parsed from markup files."""
