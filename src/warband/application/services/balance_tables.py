from __future__ import annotations

import math


# Market
MARKET_BASE_TARGET = 1.0
MARKET_PRODUCTION_ADJUST = -0.4
MARKET_LOOTED_NEIGHBOR_ADJUST = 0.6
MARKET_WAR_STRATEGIC_ADJUST = 0.5
MARKET_WAR_LUXURY_ADJUST = -0.2
MARKET_LORD_PROVISION_ADJUST = 0.15
MARKET_STRATEGIC_GOODS = frozenset({"tools", "salt"})
MARKET_LUXURY_GOODS = frozenset({"velvet", "wine"})
MARKET_PROVISION_GOODS = frozenset({"ale", "salt"})
MARKET_TARGET_MIN = 0.3
MARKET_TARGET_MAX = 3.0
MARKET_SMOOTHING_KEEP = 0.7
MARKET_LOOTED_MULTIPLIER = 2.5
MARKET_SURGE_RATIO = 1.4
MARKET_SLUMP_RATIO = 0.7
MARKET_SELL_RATIO = 0.9

# Diplomacy
DIPLOMACY_DECAY_STEP = 0.5
DIPLOMACY_EVENT_CHANCE = 0.05
DIPLOMACY_EVENT_SHIFT = 5
WAR_THRESHOLD = -50
PEACE_THRESHOLD = 10
DIPLOMACY_INTERVAL_DAYS = 3

# Lords
LORD_DEFEAT_DAYS = 5
LORD_LOOT_DAYS = 5
LORD_FAR_FUTURE_DAYS = 9999
LORD_FAR_FUTURE_LOG_WINDOW = 9000
LORD_RAID_MIN_TROOPS = 30
LORD_RAID_ATTRITION = 0.05
LORD_RECRUIT_MAX_TROOPS = 100
LORD_RECRUIT_MIN_POOL = 5
LORD_RECRUIT_BATCH = 10
LORD_OFFENSIVE_MIN_TROOPS = 50

# Daily maintenance
LOOT_RECOVERY_RECRUITS = 10
HEAL_BASE = 10
HEAL_PER_WOUND_TREATMENT = 5
TROOP_HEAL_RATE = 0.1
DAILY_TAX_PER_FIEF = 100
TRAINING_XP_BASE = 5
TRAINING_XP_PER_TRAINER = 2
ENTERPRISE_INCOME_INTERVAL_DAYS = 7

# Progression
LEVEL_XP_STEP = 500
LEVEL_UP_MAX_ITERATIONS = 100
QUEST_XP_PER_RENOWN = 10
PERSUASION_REWARD_BONUS = 0.04

# Battle
VICTORY_RENOWN = 10
DEFEAT_RENOWN_PENALTY = 5
BOUNTY_RELATION_GAIN = 10
DELIVERY_RELATION_GAIN = 5
DEFEATED_HP = 1
FACTION_PATROL_CHANCE = 0.4
ENEMY_SIZE_MIN_RATIO = 0.5
ENEMY_SIZE_RATIO_SPREAD = 0.8

# Travel
TRAVEL_EVENT_CHANCE = 0.25

# Army
BASE_TROOP_CAP = 20
RENOWN_PER_EXTRA_TROOP = 25
TROOPS_PER_LEADERSHIP = 5
RECRUIT_RELATION_DIVISOR = 200
UPGRADE_DISCOUNT_PER_TRAINER = 0.05
TRADE_SKILL_DIVISOR = 100
PERSUASION_PRICE_BONUS = 0.04

# Player actions
JOIN_FACTION_MIN_RENOWN = 50
JOIN_FACTION_RELATION_GAIN = 10
FIEF_MIN_RENOWN = 150
RAID_GOLD_BASE = 200
RAID_GOLD_SPREAD = 500
RAID_RENOWN_PENALTY = 15
RAID_RELATION_PENALTY = 30
RAID_LOOTED_DAYS = 7
HEAL_PARTY_COST = 100
HEAL_PARTY_HP = 50
RUMOR_COST = 10

# Delegation
DELEGATE_RECRUIT_GOLD_FACTOR = 5
DELEGATE_ENTERPRISE_GOLD = 10000


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def level_threshold(level: int) -> int:
    return LEVEL_XP_STEP * max(1, int(level))
