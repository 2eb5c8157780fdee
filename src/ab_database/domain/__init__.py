"""Domain layer - transaction policy, column decoding and the error taxonomy."""
