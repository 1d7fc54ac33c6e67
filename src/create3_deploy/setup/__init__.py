"""Deployment orchestration: bootstrap, prediction, deployment, verification."""
