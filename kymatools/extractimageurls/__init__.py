"""Extraction of container image references from Terraform and Prow job configuration."""