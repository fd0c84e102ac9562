"""Rules about module presence and activation."""
