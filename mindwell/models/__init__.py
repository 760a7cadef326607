"""Pydantic models for progression documents and catalogs"""
