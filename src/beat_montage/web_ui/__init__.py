"""Flask HTTP surface for montage jobs."""
