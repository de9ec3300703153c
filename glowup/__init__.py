"""GlowUp scoring engine: points, levels, achievements and streaks"""
