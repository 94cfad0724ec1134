"""
Haptic Hands - Phone-driven virtual hand gateway.

This module runs next to the 3D scene and:
- Receives touch/gesture datagrams from phones over UDP
- Turns them into rays, pinch grabs and twist rotations for two hands
- Drives grab-and-drop of physical objects
- Routes vibration/stop feedback back to the phone that owns each hand
"""

__version__ = "1.0.0"
