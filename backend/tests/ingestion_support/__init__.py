"""Shared helpers for document ingestion tests"""
