import os
import csv
import random

random.seed(2013)

if not os.path.exists("data"):
    os.mkdir("data")

AIRLINES = {
    "9E": "Endeavor Air Inc.",
    "AA": "American Airlines Inc.",
    "B6": "JetBlue Airways",
    "DL": "Delta Air Lines Inc.",
    "EV": "ExpressJet Airlines Inc.",
    "MQ": "Envoy Air",
    "UA": "United Air Lines Inc.",
    "US": "US Airways Inc.",
    "WN": "Southwest Airlines Co.",
}
ORIGINS = ["EWR", "JFK", "LGA"]
DESTINATIONS = ["ATL", "BOS", "CLT", "DFW", "IAH", "LAX", "MCO", "MIA", "ORD", "SFO"]

if not os.path.exists("data/airlines.csv"):
  with open("data/airlines.csv", "w", newline="") as f:
    writer = csv.writer(f)
    writer.writerow(["carrier", "name"])
    writer.writerows(sorted(AIRLINES.items()))

if not os.path.exists("data/flights.csv"):
  # One year of flights departing from New York City airports,
  # about 2% of them were cancelled and have no departure or arrival data.
  flights = []
  for i in range(int(os.environ.get("FLIGHTS_ROWS", 100_000))):
    month = random.randint(1, 12)
    day = random.randint(1, 28)
    hour = random.randint(5, 23)
    minute = random.randint(0, 59)
    carrier = random.choice(list(AIRLINES))
    if random.random() < 0.02:
      dep_time = dep_delay = arr_delay = ""
    else:
      dep_delay = int(random.expovariate(1 / 15)) - 5
      arr_delay = dep_delay + random.randint(-25, 20)
      dep_time = hour * 100 + minute
    flights.append([
      2013, month, day, dep_time, dep_delay, arr_delay, carrier,
      random.randint(1, 2000), random.choice(ORIGINS), random.choice(DESTINATIONS),
      hour, minute,
    ])

  with open("data/flights.csv", "w", newline="") as f:
    writer = csv.writer(f)
    writer.writerow([
      "year", "month", "day", "dep_time", "dep_delay", "arr_delay", "carrier",
      "flight", "origin", "dest", "hour", "minute",
    ])
    writer.writerows(flights)
