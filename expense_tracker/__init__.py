"""Console entry point for the expense tracker."""
