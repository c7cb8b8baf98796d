"""HTTP play service for Casino."""
