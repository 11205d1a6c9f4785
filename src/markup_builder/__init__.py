"""Field discovery and markup labelling for 3D-model workspace objects."""
