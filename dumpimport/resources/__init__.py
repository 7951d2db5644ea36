"""Ressources Dagster"""
