"""
Protocol core: constants, ABI registry, address utilities and the 0x71 codec
"""
