"""Prometheus exporter for UniFi Network Controller"""
