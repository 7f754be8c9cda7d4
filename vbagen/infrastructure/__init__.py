"""Infrastructure implementations of the abstract interfaces."""
