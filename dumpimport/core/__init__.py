"""Logique métier de l'import"""
