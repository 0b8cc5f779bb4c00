"""Shared utilities for the expense tracker."""
