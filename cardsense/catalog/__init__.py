"""Card catalog: live table access, row normalization, built-in fallback."""
