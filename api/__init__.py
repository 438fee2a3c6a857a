"""Flask REST surface for the expense tracker."""
