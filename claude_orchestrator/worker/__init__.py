"""Worker-side iteration loop run inside each task container."""
