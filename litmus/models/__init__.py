"""Declarative data types: operations, references and test cases."""
