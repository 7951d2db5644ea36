"""Utilitaires transverses"""
