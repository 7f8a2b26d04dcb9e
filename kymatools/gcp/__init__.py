"""Structured logging, Pub/Sub message types and DNS change helpers."""