"""Pure domain layer: value objects, decision engine, clock."""
