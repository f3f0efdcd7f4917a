"""Search orchestration across the class and employee collections."""
