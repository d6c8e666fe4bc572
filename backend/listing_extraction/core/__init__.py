"""Configuration, logging, errors and the completion client"""
