"""Core subsystems: store access, maintenance, parsing and configuration."""
