"""
ontoslice Utils Module

This module provides RDF loading and saving for ontology graphs.
"""

from .owl_parser import OWLParser, parse_owl
from .owl_writer import OWLWriter, save_owl

__all__ = [
    'OWLParser',
    'parse_owl',
    'OWLWriter',
    'save_owl',
]
