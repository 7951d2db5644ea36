"""Jobs Dagster"""
