"""HTTP surface for the DeepRead transcript service."""
