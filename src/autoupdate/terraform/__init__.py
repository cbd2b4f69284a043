"""Terraform module and Terragrunt image dependency upgrades."""
