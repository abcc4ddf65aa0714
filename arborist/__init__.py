"""Adjacency-list tree storage with cached level and depth."""
