"""Accès au stockage clé-valeur"""
