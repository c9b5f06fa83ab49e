"""Typosquatting check: edit distance against well-known npm package names."""

from __future__ import annotations

from depsnoop.engines.supply_chain.models import RiskLevel, TyposquattingRisk

DEFAULT_THRESHOLD = 2

# Scanned in order; on equal distance the earlier name wins.
POPULAR_PACKAGES: tuple[str, ...] = (
    "react", "react-dom", "lodash", "express", "axios", "webpack", "typescript",
    "eslint", "prettier", "babel-core", "jest", "mocha", "chai", "request",
    "moment", "commander", "async", "underscore", "chalk", "debug",
    "npm", "yarn", "pnpm", "next", "vue", "angular", "jquery",
    "bootstrap", "tailwindcss", "sass", "less", "postcss",
    "webpack-cli", "webpack-dev-server", "babel-loader", "ts-loader",
    "dotenv", "cors", "body-parser", "mongoose", "sequelize",
    "redis", "pg", "mysql", "mongodb", "sqlite3",
    "passport", "bcrypt", "jsonwebtoken", "uuid", "validator",
    "nodemon", "pm2", "forever", "cross-env",
    "socket.io", "ws", "graphql", "apollo-server",
    "redux", "mobx", "zustand", "recoil",
    "react-router", "react-router-dom", "vue-router",
    "@types/node", "@types/react", "@types/express",
    "tslib", "core-js", "regenerator-runtime",
    "rimraf", "mkdirp", "glob", "minimatch",
    "semver", "yargs", "inquirer", "ora",
    "fs-extra", "path", "util", "stream",
    "bluebird", "q", "co", "rxjs",
    "date-fns", "dayjs", "luxon",
    "classnames", "clsx", "prop-types",
    "fast-glob", "chokidar", "nodemailer",
    "cheerio", "jsdom", "puppeteer", "playwright",
    "sharp", "jimp", "canvas",
    "compression", "helmet", "morgan",
)  # fmt: skip


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance (insert, delete, substitute)."""
    a, b = a.lower(), b.lower()
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _confidence(distance: int) -> RiskLevel:
    if distance <= 1:
        return RiskLevel.HIGH
    if distance == 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def check_typosquatting(
    name: str,
    threshold: int = DEFAULT_THRESHOLD,
    candidates: tuple[str, ...] = POPULAR_PACKAGES,
) -> TyposquattingRisk | None:
    """Return the closest popular name within *threshold* edits, if any.

    A name that *is* a popular package (ignoring case) is never reported.
    """
    if threshold <= 0:
        threshold = DEFAULT_THRESHOLD

    best = ""
    best_distance = threshold + 1
    for popular in candidates:
        distance = levenshtein(name, popular)
        if distance == 0:
            return None
        if distance < best_distance:
            best, best_distance = popular, distance

    if best_distance > threshold:
        return None
    return TyposquattingRisk(
        package_name=name,
        similar_to=best,
        distance=best_distance,
        confidence=_confidence(best_distance),
    )
