"""Redis integration for shared rate-limit counters"""
