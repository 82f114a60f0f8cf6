"""Pure domain layer: DTOs, approval state machine, authorization predicate."""
