"""Hooks Dagster"""
