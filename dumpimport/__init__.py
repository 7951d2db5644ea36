"""Import de dumps SQL legacy vers le stockage clé-valeur logistique"""

__version__ = "0.1.0"
