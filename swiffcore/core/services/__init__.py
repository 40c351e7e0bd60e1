"""Application services: debounced save coordinator and managed task registry."""
