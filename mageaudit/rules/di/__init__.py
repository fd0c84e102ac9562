"""Rules correlating dependency-injection configuration with source code."""
