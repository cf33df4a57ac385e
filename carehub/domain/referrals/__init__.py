"""Referral domain - patient referrals, public lead capture and referral credits"""
