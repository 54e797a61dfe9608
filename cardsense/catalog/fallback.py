"""Built-in card catalog used when the credit_cards table is missing or empty.

Rows use the same raw shape as the table and go through normalize_card_row,
so fallback cards carry the same defaults and capability tags as live ones.
A `min_cibil_score` of 0 means the issuer does not require a bureau score.
Ordered by popularity, highest first.
"""

from __future__ import annotations

from functools import cache
from typing import Any

from cardsense.catalog.normalize import normalize_card_row
from cardsense.schemas.cards import CardRecord

FALLBACK_CARD_ROWS: list[dict[str, Any]] = [
    {
        "id": "hdfc-millennia",
        "bank_name": "HDFC Bank",
        "card_name": "HDFC Millennia Credit Card",
        "card_network": "mastercard",
        "card_type": "cashback",
        "joining_fee": 1000,
        "annual_fee": 1000,
        "annual_fee_waiver_spend": 100000,
        "min_income_salaried": 420000,
        "min_income_self_employed": 720000,
        "min_cibil_score": 720,
        "reward_rate_default": 1,
        "reward_rate_categories": {"shopping": 5, "dining": 5},
        "lounge_access": "domestic",
        "description": "5% cashback on Amazon, Flipkart, Myntra, Swiggy and Zomato; 1% on other spends.",
        "pros": [
            "5% cashback on popular shopping and food apps",
            "8 domestic lounge visits a year",
            "Fee waived on INR 1 lakh annual spend",
        ],
        "cons": ["Cashback capped at INR 1,000 per month", "Lower offline reward rate"],
        "best_for": ["online_shopping", "dining", "entertainment"],
        "popularity_score": 95,
    },
    {
        "id": "sbi-cashback",
        "bank_name": "SBI Card",
        "card_name": "SBI Cashback Credit Card",
        "card_network": "visa",
        "card_type": "cashback",
        "joining_fee": 999,
        "annual_fee": 999,
        "annual_fee_waiver_spend": 200000,
        "min_income_salaried": 300000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "reward_rate_categories": {"shopping": 5},
        "fuel_surcharge_waiver": True,
        "description": "5% cashback on all online spends without merchant restrictions.",
        "pros": ["5% cashback on online spends", "Cashback auto-credited to statement"],
        "cons": ["No lounge access", "Monthly cashback cap of INR 5,000"],
        "best_for": ["online_shopping", "utilities"],
        "popularity_score": 93,
    },
    {
        "id": "icici-amazon-pay",
        "bank_name": "ICICI Bank",
        "card_name": "Amazon Pay ICICI Credit Card",
        "card_network": "visa",
        "card_type": "cashback",
        "joining_fee": 0,
        "annual_fee": 0,
        "min_income_salaried": 300000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "reward_rate_categories": {"shopping": 5, "utilities": 2},
        "fuel_surcharge_waiver": True,
        "description": "Lifetime free card with Amazon Pay balance rewards.",
        "pros": ["Lifetime free", "5% back on Amazon for Prime members", "2% on bill payments via Amazon Pay"],
        "cons": ["Best rewards limited to Amazon", "No lounge access"],
        "best_for": ["online_shopping", "utilities"],
        "popularity_score": 92,
    },
    {
        "id": "axis-ace",
        "bank_name": "Axis Bank",
        "card_name": "Axis Bank ACE Credit Card",
        "card_network": "visa",
        "card_type": "cashback",
        "joining_fee": 499,
        "annual_fee": 499,
        "annual_fee_waiver_spend": 200000,
        "min_income_salaried": 300000,
        "min_cibil_score": 700,
        "reward_rate_default": 1.5,
        "reward_rate_categories": {"utilities": 5, "dining": 4},
        "fuel_surcharge_waiver": True,
        "lounge_access": "domestic",
        "description": "5% cashback on bill payments through Google Pay, 4% on Swiggy, Zomato and Ola.",
        "pros": ["Flat 1.5% cashback on other spends", "4 domestic lounge visits a year"],
        "cons": ["Best cashback needs Google Pay"],
        "best_for": ["utilities", "dining", "travel"],
        "popularity_score": 90,
    },
    {
        "id": "idfc-first-classic",
        "bank_name": "IDFC First Bank",
        "card_name": "IDFC FIRST Classic Credit Card",
        "card_network": "visa",
        "card_type": "entry-level",
        "joining_fee": 0,
        "annual_fee": 0,
        "min_income_salaried": 300000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "description": "Lifetime free starter card with never-expiring reward points.",
        "pros": ["Lifetime free", "10X reward points above INR 20,000 monthly spend", "Low forex markup"],
        "cons": ["Reward value is modest on small spends"],
        "best_for": ["online_shopping", "dining", "entertainment"],
        "popularity_score": 88,
    },
    {
        "id": "onecard",
        "bank_name": "OneCard (Federal Bank)",
        "card_name": "OneCard Metal Credit Card",
        "card_network": "visa",
        "card_type": "rewards",
        "joining_fee": 0,
        "annual_fee": 0,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "description": "App-first metal card with 5X reward points on top spend categories each month.",
        "pros": ["Lifetime free metal card", "5X points on your top 2 spend categories", "Instant app-based control"],
        "cons": ["Needs an existing bureau score"],
        "best_for": ["online_shopping", "dining", "travel"],
        "popularity_score": 86,
    },
    {
        "id": "hdfc-upi-rupay",
        "bank_name": "HDFC Bank",
        "card_name": "HDFC Bank UPI RuPay Credit Card",
        "card_network": "rupay",
        "card_type": "entry-level",
        "joining_fee": 250,
        "annual_fee": 250,
        "annual_fee_waiver_spend": 25000,
        "min_income_salaried": 144000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "description": "RuPay card that links to UPI apps for credit payments on merchant QR codes.",
        "pros": ["Pay on any merchant UPI QR with credit", "3% cashpoints on groceries and dining"],
        "cons": ["Cashpoint caps per category"],
        "best_for": ["groceries", "dining", "utilities"],
        "popularity_score": 84,
    },
    {
        "id": "axis-flipkart",
        "bank_name": "Axis Bank",
        "card_name": "Flipkart Axis Bank Credit Card",
        "card_network": "visa",
        "card_type": "cashback",
        "joining_fee": 500,
        "annual_fee": 500,
        "annual_fee_waiver_spend": 350000,
        "min_income_salaried": 180000,
        "min_cibil_score": 700,
        "reward_rate_default": 1.5,
        "reward_rate_categories": {"shopping": 5, "travel": 4},
        "lounge_access": "domestic",
        "description": "5% cashback on Flipkart and Cleartrip, 4% on preferred partners like Uber and Swiggy.",
        "pros": ["Unlimited 1.5% cashback elsewhere", "Cashback credited to statement"],
        "cons": ["Fee waiver needs INR 3.5 lakh spend"],
        "best_for": ["online_shopping", "travel", "dining"],
        "popularity_score": 83,
    },
    {
        "id": "hdfc-swiggy",
        "bank_name": "HDFC Bank",
        "card_name": "Swiggy HDFC Bank Credit Card",
        "card_network": "mastercard",
        "card_type": "cashback",
        "joining_fee": 500,
        "annual_fee": 500,
        "annual_fee_waiver_spend": 200000,
        "min_income_salaried": 180000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "reward_rate_categories": {"dining": 10, "shopping": 5},
        "description": "10% cashback on Swiggy food, Instamart and Dineout.",
        "pros": ["10% back on Swiggy orders", "5% on popular online merchants"],
        "cons": ["Cashback capped per statement cycle"],
        "best_for": ["dining", "groceries", "online_shopping"],
        "popularity_score": 80,
    },
    {
        "id": "hdfc-indian-oil",
        "bank_name": "HDFC Bank",
        "card_name": "IndianOil HDFC Bank Credit Card",
        "card_network": "visa",
        "card_type": "fuel",
        "joining_fee": 500,
        "annual_fee": 500,
        "annual_fee_waiver_spend": 50000,
        "min_income_salaried": 144000,
        "min_cibil_score": 700,
        "reward_rate_default": 1,
        "reward_rate_categories": {"fuel": 5, "groceries": 5, "utilities": 5},
        "fuel_surcharge_waiver": True,
        "description": "Fuel points on IndianOil outlets, groceries and bill payments.",
        "pros": ["Up to 50 litres of free fuel a year", "5% fuel points at IndianOil"],
        "cons": ["Points best redeemed for fuel"],
        "best_for": ["fuel", "groceries", "utilities"],
        "popularity_score": 78,
    },
    {
        "id": "icici-coral",
        "bank_name": "ICICI Bank",
        "card_name": "ICICI Bank Coral Credit Card",
        "card_network": "rupay",
        "card_type": "rewards",
        "joining_fee": 500,
        "annual_fee": 500,
        "annual_fee_waiver_spend": 150000,
        "min_income_salaried": 240000,
        "min_cibil_score": 700,
        "reward_rate_default": 0.5,
        "lounge_access": "domestic",
        "description": "Movie and dining discounts with reward points on every spend; RuPay variant works on UPI.",
        "pros": ["25% off movie tickets", "Railway and airport lounge access", "UPI payments on RuPay variant"],
        "cons": ["Low base reward rate"],
        "best_for": ["entertainment", "dining"],
        "popularity_score": 75,
    },
    {
        "id": "idfc-first-wow",
        "bank_name": "IDFC First Bank",
        "card_name": "IDFC FIRST WOW Credit Card",
        "card_network": "visa",
        "card_type": "secured",
        "joining_fee": 0,
        "annual_fee": 0,
        "min_cibil_score": 0,
        "reward_rate_default": 1,
        "description": "Fixed deposit backed card; no income proof or credit history needed.",
        "pros": [
            "Issued against an FD from INR 5,000",
            "No income proof or credit history required",
            "Zero forex markup on international spends",
        ],
        "cons": ["Credit limit tied to FD amount"],
        "best_for": ["online_shopping", "travel"],
        "popularity_score": 74,
    },
    {
        "id": "kotak-811-dream-different",
        "bank_name": "Kotak Mahindra Bank",
        "card_name": "Kotak 811 #DreamDifferent Credit Card",
        "card_network": "visa",
        "card_type": "secured",
        "joining_fee": 0,
        "annual_fee": 0,
        "min_cibil_score": 0,
        "reward_rate_default": 0.5,
        "fuel_surcharge_waiver": True,
        "description": "Secured card against a Kotak 811 fixed deposit for first-time borrowers.",
        "pros": ["Lifetime free", "Limit up to 90% of the FD", "Builds credit history from scratch"],
        "cons": ["Needs a Kotak 811 account"],
        "best_for": ["groceries", "utilities"],
        "popularity_score": 70,
    },
    {
        "id": "hdfc-regalia-gold",
        "bank_name": "HDFC Bank",
        "card_name": "HDFC Regalia Gold Credit Card",
        "card_network": "mastercard",
        "card_type": "premium",
        "joining_fee": 2500,
        "annual_fee": 2500,
        "annual_fee_waiver_spend": 400000,
        "min_income_salaried": 1200000,
        "min_income_self_employed": 1440000,
        "min_cibil_score": 750,
        "reward_rate_default": 1.3,
        "reward_rate_categories": {"travel": 6.5, "dining": 6.5},
        "lounge_access": "international",
        "golf_access": True,
        "description": "Premium travel and lifestyle card with airport lounge access and milestone vouchers.",
        "pros": ["12 domestic + 6 international lounge visits", "5X points on partner brands", "Milestone flight vouchers"],
        "cons": ["Higher annual fee", "Points value drops outside travel redemption"],
        "best_for": ["travel", "dining", "online_shopping"],
        "popularity_score": 68,
    },
    {
        "id": "axis-atlas",
        "bank_name": "Axis Bank",
        "card_name": "Axis Bank Atlas Credit Card",
        "card_network": "visa",
        "card_type": "travel",
        "joining_fee": 5000,
        "annual_fee": 5000,
        "min_income_salaried": 1800000,
        "min_cibil_score": 750,
        "reward_rate_default": 2,
        "reward_rate_categories": {"travel": 5},
        "lounge_access": "international",
        "description": "Edge Miles on every spend, transferable to airline and hotel partners.",
        "pros": ["5 Edge Miles per INR 100 on travel", "Milestone bonus miles", "International lounge access"],
        "cons": ["High fee for occasional travellers"],
        "best_for": ["travel"],
        "popularity_score": 64,
    },
    {
        "id": "hdfc-business-moneyback",
        "bank_name": "HDFC Bank",
        "card_name": "HDFC Business MoneyBack Credit Card",
        "card_network": "mastercard",
        "card_type": "business",
        "joining_fee": 500,
        "annual_fee": 500,
        "annual_fee_waiver_spend": 50000,
        "min_income_salaried": 600000,
        "min_income_self_employed": 600000,
        "min_cibil_score": 720,
        "reward_rate_default": 1,
        "reward_rate_categories": {"utilities": 5},
        "description": "Cashback points on business utilities, GST and tax payments.",
        "pros": ["5X points on utility and tax payments", "Separate business statement"],
        "cons": ["Requires business income proof"],
        "best_for": ["utilities", "travel"],
        "popularity_score": 55,
    },
    {
        "id": "hdfc-infinia",
        "bank_name": "HDFC Bank",
        "card_name": "HDFC Infinia Metal Edition",
        "card_network": "visa",
        "card_type": "super_premium",
        "joining_fee": 12500,
        "annual_fee": 12500,
        "annual_fee_waiver_spend": 1000000,
        "min_income_salaried": 3600000,
        "min_cibil_score": 780,
        "reward_rate_default": 3.3,
        "reward_rate_categories": {"travel": 16.5},
        "lounge_access": "unlimited",
        "golf_access": True,
        "concierge_service": True,
        "description": "Invite-only super-premium card with unlimited lounge access worldwide.",
        "pros": ["Unlimited lounge access worldwide", "3.3% reward rate", "Complimentary golf and concierge"],
        "cons": ["Invite-only with very high income requirement"],
        "best_for": ["travel", "dining", "entertainment"],
        "popularity_score": 50,
    },
]


@cache
def fallback_catalog() -> tuple[CardRecord, ...]:
    """Normalized fallback cards, built once per process."""
    return tuple(normalize_card_row(row) for row in FALLBACK_CARD_ROWS)
