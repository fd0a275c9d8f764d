"""Habit engine services: period codec, evaluators, recorder and views."""
