"""Rules about interceptor plugins."""
