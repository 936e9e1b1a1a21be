"""Prayer times countdown and Qibla compass."""
