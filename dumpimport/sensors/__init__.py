"""Sensors Dagster"""
