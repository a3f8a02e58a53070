#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core utilities: logging and path helpers
"""
